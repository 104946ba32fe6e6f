"""finbot — Lark/Feishu chat-bot bridge."""

__version__ = "0.1.0"
