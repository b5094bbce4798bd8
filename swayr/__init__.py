"""swayr - LRU window switcher and auto-tiler for the sway compositor.

The package ships two programs:
- swayrd: daemon mirroring the sway tree with focus recency and urgency
- swayr: thin client sending commands to the daemon over a unix socket
"""

__version__ = "0.1.0"
