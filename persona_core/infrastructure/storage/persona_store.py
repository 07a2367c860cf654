from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from persona_core.domain.exceptions import BusinessError
from persona_core.domain.models import PersonaConfig, TrainingExample
from persona_core.domain.personas import PersonaStore


DEFAULT_PERSONA_DIR = Path(__file__).resolve().parents[2] / "personas"


class YamlPersonaStore(PersonaStore):
    """只读人设存储：启动时从目录下的 *.yaml 一次性加载。"""

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or DEFAULT_PERSONA_DIR).resolve()
        self._personas: Dict[str, PersonaConfig] = {}
        for path in sorted(self._root.glob("*.yaml")):
            persona = self._load(path)
            self._personas[persona.id] = persona

    def get(self, persona_id: str) -> Optional[PersonaConfig]:
        return self._personas.get(persona_id)

    def list(self) -> List[PersonaConfig]:
        return list(self._personas.values())

    def _load(self, path: Path) -> PersonaConfig:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=f"{path.name}: {e}")
        if not isinstance(data, dict) or not data.get("system_instruction"):
            raise BusinessError(code="STORE_READ_ERROR", message=f"{path.name}: missing system_instruction")
        return self._to_persona(data, default_id=path.stem)

    @staticmethod
    def _to_persona(data: Dict[str, Any], default_id: str) -> PersonaConfig:
        examples = tuple(
            TrainingExample(
                user_input=str(ex.get("user_input") or ""),
                expected_response=str(ex.get("expected_response") or ""),
            )
            for ex in (data.get("training_examples") or [])
            if isinstance(ex, dict)
        )
        persona_id = str(data.get("id") or default_id)
        return PersonaConfig(
            id=persona_id,
            name=str(data.get("name") or persona_id),
            system_instruction=str(data["system_instruction"]).strip(),
            training_examples=examples,
            tone=str(data.get("tone") or "natural, conversational"),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            avatar=str(data.get("avatar") or ""),
            specialties=tuple(str(s) for s in (data.get("specialties") or [])),
            greeting=str(data.get("greeting") or ""),
        )
