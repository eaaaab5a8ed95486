
from typing import Iterable, List
from personalizer_loop.context import Action

# rankから除外するアクション。順位は固定され、選ばれることはない
DEFAULT_EXCLUDED_ACTIONS = ["juice"]

def get_actions() -> List[Action]:
    """
    Personalizerに渡すアクション一覧とその特徴量を返す。
    """
    return [
        Action(
            id="pasta",
            features=[
                {"taste": "salty", "spiceLevel": "medium"},
                {"nutritionLevel": 5, "cuisine": "italian"},
            ],
        ),
        Action(
            id="ice cream",
            features=[
                {"taste": "sweet", "spiceLevel": "none"},
                {"nutritionalLevel": 2},
            ],
        ),
        Action(
            id="juice",
            features=[
                {"taste": "sweet", "spiceLevel": "none"},
                {"nutritionLevel": 5},
                {"drink": True},
            ],
        ),
        Action(
            id="salad",
            features=[
                {"taste": "salty", "spiceLevel": "low"},
                {"nutritionLevel": 8},
            ],
        ),
    ]

def filter_actions(actions: Iterable[Action], excluded_ids: Iterable[str]) -> List[Action]:
    """Return the actions that remain rankable once `excluded_ids` are held back."""
    excluded = set(excluded_ids)
    return [action for action in actions if action.id not in excluded]
