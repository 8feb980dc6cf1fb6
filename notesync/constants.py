"""
NoteSync Constants.

This module contains constants used in NoteSync.
It includes the cursor alphabet and epoch, the cursor widths and
sentinel, the note visibility classes, the note columns, the
document keys sent to the search backend and the allow-list host pattern.
"""

import re

# Cursor encoding
# 2000-01-01T00:00:00Z in milliseconds since the unix epoch
CURSOR_EPOCH = 946684800000
CURSOR_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
CURSOR_BASE = len(CURSOR_ALPHABET)
# number of time digits in a cursor
CURSOR_TIME_WIDTH = 8
# intra-millisecond sequence digits, always zero for a time boundary
CURSOR_SUFFIX = "00"
CURSOR_WIDTH = CURSOR_TIME_WIDTH + len(CURSOR_SUFFIX)
# largest elapsed milliseconds that fit the time digits
CURSOR_MAX_ELAPSED = CURSOR_BASE**CURSOR_TIME_WIDTH - 1
# sorts before any legitimate note id
MIN_CURSOR = "0" * CURSOR_WIDTH
CURSOR_PATTERN = re.compile(r"^[0-9a-z]{%d}\Z" % CURSOR_WIDTH)

# Note visibility classes that are synced
PUBLIC = "public"
HOME = "home"

VISIBILITIES = [
    PUBLIC,
    HOME,
]

# Note columns projected for sync
NOTE_COLUMNS = [
    "id",
    "createdAt",
    "userId",
    "userHost",
    "channelId",
    "cw",
    "text",
    "tags",
]

# Note columns that must never be null
REQUIRED_COLUMNS = [
    "id",
    "createdAt",
    "userId",
]

# Document primary key in the search backend
PRIMARY_KEY = "id"

# Allow-listed hosts: hostname labels with an optional port
HOST_PATTERN = re.compile(
    r"^(?=.{1,253}(?::\d{1,5})?\Z)"
    r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*"
    r"(?::\d{1,5})?\Z"
)

# Task statuses reported for Elasticsearch/OpenSearch bulk requests
SUCCEEDED = "succeeded"
FAILED = "failed"
