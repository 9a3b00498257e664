"""Payment processor integration (Stripe)."""
from omaa.payments.stripe_gateway import StripeGateway, SubscriptionInfo

__all__ = ["StripeGateway", "SubscriptionInfo"]
