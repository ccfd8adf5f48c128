"""
Utils Package
"""
from quizmaster.utils.helpers import (
    now_utc,
    to_local_time,
    generate_access_key,
    get_client_ip,
    get_current_teacher,
    login_teacher,
    require_teacher
)

__all__ = [
    'now_utc',
    'to_local_time',
    'generate_access_key',
    'get_client_ip',
    'get_current_teacher',
    'login_teacher',
    'require_teacher'
]
