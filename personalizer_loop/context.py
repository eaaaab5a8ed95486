
from dataclasses import dataclass, field
from typing import Dict, List, Any

@dataclass(frozen=True)
class Action:
    id: str
    features: List[Dict[str, Any]] = field(default_factory=list)

@dataclass
class Context:
    # 1イテレーションごとに生成し、rank呼び出し後は破棄する
    features: List[Dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for group in self.features:
            merged.update(group)
        return merged

@dataclass(frozen=True)
class RankedAction:
    id: str
    probability: float

@dataclass(frozen=True)
class RankResponse:
    event_id: str
    reward_action_id: str
    ranking: List[RankedAction] = field(default_factory=list)
