"""
ytsync - Sync source video channels to the LBRY network

Mirrors a channel's videos as stream claims under a channel claim, keeping the
wallet funded and split into enough outputs for parallel publishing.
"""

__version__ = "0.1.0"
