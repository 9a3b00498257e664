"""
OMaa — an AI parenting companion.
Chat server proxying to OpenAI / Anthropic / DeepSeek, gated by a Stripe
subscription, plus a terminal chat client.
"""

__version__ = "1.0.0"
