"""VaaniAI backend: Hindi chatbot service with plans, sessions and an admin back-office."""

__version__ = "1.0.0"
