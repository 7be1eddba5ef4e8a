"""
Ledger and sync constants.

Amounts are in LBC. Defaults for the wallet policy live in ytsync.config.
"""

from __future__ import annotations

from decimal import Decimal

# Outputs at or below this amount are not counted as usable for publishing
UTXO_DUST_THRESHOLD = Decimal("0.001")

UTXO_TARGET_COUNT = 40
# Resplit only when the usable output count falls below target - slack
UTXO_SLACK_RATIO = 0.1
UTXO_WAIT_THRESHOLD = 16
UTXO_MAX_OUTPUTS = 500
UTXO_SPLIT_UNIT = Decimal("0.1")
BROADCAST_FEE = Decimal("0.1")

# Confirmation wait phases (seconds)
SYNC_POLL_INTERVAL = 5.0
BLOCK_POLL_INTERVAL = 10.0

LEDGER_MAINNET = "lbc_mainnet"
LEDGER_REGTEST = "lbc_regtest"

CURRENT_METADATA_VERSION = 2

MAX_DOWNLOAD_ATTEMPTS = 5
MAX_SLUG_LENGTH = 30
# When the next word would overflow, a shorter slug is padded with a cut chunk
MIN_SLUG_LENGTH = 20

MAX_DESCRIPTION_LINES = 10
MAX_FAILURE_REASON_LENGTH = 500

LICENSE = "Copyrighted (contact publisher)"
STREAM_WIDTH = 1280
STREAM_HEIGHT = 720

WATCH_URL = "https://www.youtube.com/watch?v="

ALLOWED_VIDEO_CODECS = ("avc1", "h264")
ALLOWED_CONTAINERS = ("mp4",)

FALLBACK_FORMAT = (
    "bestvideo[ext=mp4,height<=1080,filesize<2000M]+best[ext=mp4,height<=1080,filesize<2000M]"
)

SOURCE_CATEGORIES: dict[str, str] = {
    "1": "film & animation",
    "2": "autos & vehicles",
    "10": "music",
    "15": "pets & animals",
    "17": "sports",
    "18": "short movies",
    "19": "travel & events",
    "20": "gaming",
    "21": "videoblogging",
    "22": "people & blogs",
    "23": "comedy",
    "24": "entertainment",
    "25": "news & politics",
    "26": "howto & style",
    "27": "education",
    "28": "science & technology",
    "29": "nonprofits & activism",
    "30": "movies",
    "31": "anime/animation",
    "32": "action/adventure",
    "33": "classics",
    "34": "comedy",
    "35": "documentary",
    "36": "drama",
    "37": "family",
    "38": "foreign",
    "39": "horror",
    "40": "sci-fi/fantasy",
    "41": "thriller",
    "42": "shorts",
    "43": "shows",
    "44": "trailers",
}
