"""Persona Core 顶层包。

该包提供人设聊天服务的弹性调用层，
包括配置加载、领域模型、人设存储、prompt 组装、
错误分类、指数退避重试与多模型降级调用。
"""

__version__ = "1.0.0"
