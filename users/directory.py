from django.contrib.auth import get_user_model


def member_exists(member_id):
    """Return True if member_id belongs to an active library account."""
    if member_id is None:
        return False
    return get_user_model().objects.filter(pk=member_id, is_active=True).exists()


def get_member(member_id):
    """Return the active member or None."""
    return (
        get_user_model().objects.filter(pk=member_id, is_active=True).first()
        if member_id is not None
        else None
    )


def display_name(member):
    full_name = member.get_full_name() if hasattr(member, "get_full_name") else ""
    return full_name or member.get_username()
