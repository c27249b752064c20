"""Service layer for agentchat.

Contact identity, the remote conversation store boundary, conversation
queries and the per-turn orchestration protocol.
"""
