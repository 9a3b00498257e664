"""OMaa chat client: storage, conversation history, access gate, orchestrator."""
