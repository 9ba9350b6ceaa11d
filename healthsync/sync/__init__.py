"""Remote-store sync for Health Sync.

Modules:
    client       — httpx client for the remote record store
    availability — Availability state store and timeout-based prober
    publisher    — Sequential batch publisher with per-record outcomes
"""
