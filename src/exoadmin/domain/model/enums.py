"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class RelationshipKind(StrEnum):
    FULL_ACCESS = "full-access-permission"
    SEND_AS = "send-as-permission"
    SEND_ON_BEHALF = "send-on-behalf-permission"
    GROUP_MEMBERSHIP = "group-membership"
    GROUP_EXISTENCE = "group-existence"
    MAILBOX_ALIAS = "mailbox-alias"


class ObjectKind(StrEnum):
    """What a lookup is allowed to match."""

    MAILBOX = "mailbox"
    GROUP = "group"
    # Any mail-enabled principal: user, mailbox, mail contact or group.
    RECIPIENT = "recipient"


class Decision(StrEnum):
    SKIPPED = "Skipped"
    APPLIED = "Applied"
    FAILED = "Failed"


class Reason(StrEnum):
    """Machine-readable reason codes attached to outcomes."""

    EMPTY_INPUT = "empty-input"
    ALREADY_SATISFIED = "already-satisfied"
    DRY_RUN = "dry-run"
    TARGET_NOT_FOUND = "target-not-found"
    SUBJECT_NOT_FOUND = "subject-not-found"
    AMBIGUOUS_MATCH = "ambiguous-match"
    REMOTE_ERROR = "remote-error"
    APPLIED = "applied"

