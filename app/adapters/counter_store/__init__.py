"""Counter store adapters.

Limiters keep no request history in-process; every counter lives in a shared
store reached through the abstract interface defined here, so several API
instances can enforce one common budget per client.
"""
