from enum import StrEnum


class NoticeKind(StrEnum):
    RETRY = 'retry'  # safe to try again
    ACTION = 'action'  # buyer has to fix something first (fill a field, rejoin the queue)
    SUPPORT = 'support'  # money may have moved, contact support with the reference
