"""Conversation state, context construction and turn orchestration."""
