from flagcore.lib.experiments.targeting.base import Targeting
from flagcore.lib.experiments.targeting.base import TargetingContext
from flagcore.lib.experiments.targeting.tree_targeting import create_targeting_tree
from flagcore.lib.experiments.targeting.tree_targeting import TargetingNodeError
from flagcore.lib.experiments.targeting.tree_targeting import UnknownTargetingOperatorError


__all__ = [
    "Targeting",
    "TargetingContext",
    "TargetingNodeError",
    "UnknownTargetingOperatorError",
    "create_targeting_tree",
]
