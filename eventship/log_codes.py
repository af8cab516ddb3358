"""
Log codes for transmission operations.
"""

TRANSMISSION = "transmission"

# Lifecycle
STARTED = f"{TRANSMISSION}.started"
STOPPED = f"{TRANSMISSION}.stopped"
NOT_RUNNING = f"{TRANSMISSION}.not_running"

# Queues
QUEUE = f"{TRANSMISSION}.queue"
QUEUE_OVERFLOW = f"{QUEUE}.overflow"
RESPONSE_DROPPED = f"{QUEUE}.response_dropped"

# Aggregation
BATCH = f"{TRANSMISSION}.batch"
BATCH_FIRED = f"{BATCH}.fired"
BATCH_OVERFLOWED = f"{BATCH}.overflowed"
BATCH_GROUP_FAILED = f"{BATCH}.group_failed"
EVENT_TOO_LARGE = f"{BATCH}.event_too_large"
EVENT_ENCODING_FAILED = f"{BATCH}.event_encoding_failed"

# HTTP delivery
SEND = f"{TRANSMISSION}.send"
SEND_SUCCEEDED = f"{SEND}.succeeded"
SEND_FAILED = f"{SEND}.failed"
SEND_REJECTED = f"{SEND}.rejected"
RESPONSE_MALFORMED = f"{SEND}.response_malformed"
