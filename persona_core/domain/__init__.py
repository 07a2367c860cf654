"""领域层模型与协议。

包含：
- models: PersonaConfig / ConversationTurn / ChatRequest / ChatResponse 等数据模型。
- personas: PersonaStore 抽象（按 ID 查询人设）。
- exceptions: 业务异常类型定义。
"""
