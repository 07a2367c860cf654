from typing import List, Optional, Protocol

from .models import PersonaConfig


class PersonaStore(Protocol):
    """外部人设存储。核心逻辑只通过 ID 查询，不修改。"""

    def get(self, persona_id: str) -> Optional[PersonaConfig]:
        ...

    def list(self) -> List[PersonaConfig]:
        ...
