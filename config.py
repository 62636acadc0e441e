"""
EVTC Summary - Runtime configuration
Values come from environment variables, with defaults for local use
"""

import os
from pathlib import Path

VERSION = "1.0.0"

# Logging
LOGS_DIR = Path(os.environ.get('EVTC_LOGS_DIR', 'logs'))
LOG_LEVEL = os.environ.get('EVTC_LOG_LEVEL', 'INFO').upper()

# Persistent data (summary history)
DATA_DIR = Path(os.environ.get('EVTC_DATA_DIR', 'data'))

# Uploads
MAX_FILE_SIZE = int(os.environ.get('EVTC_MAX_FILE_SIZE', 50 * 1024 * 1024))  # 50MB

# Optional JSON file extending the built-in encounter table
ENCOUNTERS_FILE = os.environ.get('EVTC_ENCOUNTERS_FILE')

# GW2 API
GW2_API_BASE = os.environ.get('GW2_API_BASE', 'https://api.guildwars2.com/v2')
GW2_API_TIMEOUT = float(os.environ.get('GW2_API_TIMEOUT', 30.0))
