"""Access decisions: who may send another message, and why not."""
from omaa.access.policy import (
    AccessDecision,
    evaluate_local_trial,
    evaluate_subscription,
    paywall_reason,
)

__all__ = ["AccessDecision", "evaluate_local_trial", "evaluate_subscription", "paywall_reason"]
