"""Validation protocol against the bot-detection decision service."""
