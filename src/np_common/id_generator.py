"""Business ID generation.

User IDs follow the ``usr_<8 lowercase alphanumerics>`` convention used across
the notification services. 36**8 ids is plenty for a single tenant; the
primary key is the final guard against a collision.
"""

import secrets
import string

_ALPHABET = string.ascii_lowercase + string.digits
_USER_ID_LENGTH = 8


def new_user_id() -> str:
    return "usr_" + "".join(secrets.choice(_ALPHABET) for _ in range(_USER_ID_LENGTH))
