"""
Chain access: JSON-RPC client with endpoint failover, typed records and collectors.
"""
