"""Conversation state and the inbound frame pipeline."""
