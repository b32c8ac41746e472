import logging

audit_logger = logging.getLogger("library.audit")


def log_activity(member_id, action, details=""):
    """Write one audit entry. Where it is stored is decided by LOGGING handlers."""
    audit_logger.info(
        f"{action} member={member_id} {details}".rstrip(),
        extra={"member_id": member_id, "action": action, "details": details},
    )
