"""
Profile persistence helpers shared by the profile and recipe endpoints.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func

from app import db
from app.lib.time import isoformat, next_utc_midnight, start_of_utc_day, utcnow_naive
from app.models import AIUsage, Profile, UserAPIKey

logger = logging.getLogger(__name__)


def get_profile(user_id: str) -> Optional[Profile]:
    return db.session.get(Profile, user_id)


def get_or_create_profile(user_id: str) -> Profile:
    profile = get_profile(user_id)
    if profile is None:
        profile = Profile(user_id=user_id, preferences=[], status=Profile.STATUS_ACTIVE)
        db.session.add(profile)
        db.session.commit()
        logger.info(f"Created profile for user {user_id}")
    return profile


def update_preferences(user_id: str, preferences: List[str]) -> Profile:
    profile = get_or_create_profile(user_id)
    # Assign a new list so the JSON column is flagged dirty
    profile.preferences = list(preferences)
    profile.updated_at = utcnow_naive()
    db.session.commit()
    return profile


def schedule_deletion(user_id: str) -> Profile:
    profile = get_or_create_profile(user_id)
    if profile.status != Profile.STATUS_PENDING_DELETION:
        profile.status = Profile.STATUS_PENDING_DELETION
        profile.status_changed_at = utcnow_naive()
        db.session.commit()
        logger.info(f"Profile {user_id} scheduled for deletion")
    return profile


def count_generations_since(user_id: str, since: datetime) -> int:
    return db.session.query(func.count(AIUsage.id)).filter(
        AIUsage.user_id == user_id,
        AIUsage.created_at >= since,
    ).scalar() or 0


def has_active_api_key(user_id: str) -> bool:
    return db.session.query(UserAPIKey.id).filter_by(user_id=user_id, is_active=True).first() is not None


def usage_limits(user_id: str, daily_limit: int, now: Optional[datetime] = None) -> dict:
    """
    Daily generation allowance. Users generating with their own stored key
    are unlimited, reported as -1.
    """
    now = now or utcnow_naive()
    if has_active_api_key(user_id):
        return {
            'daily_limit': -1,
            'current_usage': 0,
            'remaining_usage': -1,
            'reset_time': isoformat(now + timedelta(hours=24)),
        }
    used = count_generations_since(user_id, start_of_utc_day(now))
    return {
        'daily_limit': daily_limit,
        'current_usage': used,
        'remaining_usage': max(0, daily_limit - used),
        'reset_time': isoformat(next_utc_midnight(now)),
    }
