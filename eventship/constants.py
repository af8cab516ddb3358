# -*- coding: utf-8 -*-

PACKAGE_NAME = "eventship"

# Ingestion API limits
API_MAX_EVENT_BYTES = 100_000
API_MAX_BATCH_BYTES = 5_000_000

BATCH_ENDPOINT_PATH = "/1/batch"

# Headers
WRITE_KEY_HEADER = "X-Honeycomb-Team"
CONTENT_TYPE_JSON = "application/json"
CONTENT_ENCODING_GZIP = "gzip"

# Defaults
DEFAULT_PENDING_WORK_CAPACITY = 100
DEFAULT_RESPONSE_QUEUE_SIZE = 100
DEFAULT_MAX_BATCH_SIZE = 50
DEFAULT_BATCH_TIMEOUT = 0.1
DEFAULT_MAX_CONCURRENT_BATCHES = 80
DEFAULT_REQUEST_TIMEOUT = 60.0

# Timeouts get one extra attempt
SEND_ATTEMPTS_ON_TIMEOUT = 2

# How long consumers iterating a closed ResponseQueue wait between checks
RESPONSE_POLL_INTERVAL = 0.1

ENV_PREFIX = "EVENTSHIP_"
