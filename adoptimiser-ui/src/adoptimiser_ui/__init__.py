"""
The `adoptimiser_ui` package provides the Streamlit chat client for the Ad
Optimiser multi-agent system. It connects to the orchestrator over a
websocket, turns the agents' frames into a chat log and a live activity card,
and runs the graph queries and chart previews the agents propose against the
gateway backends.
"""
__all__ = []
