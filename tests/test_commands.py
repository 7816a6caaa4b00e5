"""
Tests for the flask CLI commands.
"""

from datetime import timedelta

from cryptography.fernet import Fernet

from app.lib.time import utcnow_naive
from conftest import ALICE_ID, BOB_ID


def _pending_profile(db, user_id, days_ago):
    from app.models import Profile
    profile = Profile(
        user_id=user_id,
        preferences=['vegan'],
        status=Profile.STATUS_PENDING_DELETION,
        status_changed_at=utcnow_naive() - timedelta(days=days_ago),
    )
    db.session.add(profile)
    return profile


class TestPurgeProfiles:

    def test_removes_expired_profiles_and_their_data(self, db):
        from app.commands import purge_profiles
        from app.models import AIUsage, Profile, Recipe, RecipeRating, UserAPIKey

        _pending_profile(db, ALICE_ID, days_ago=45)
        recipe = Recipe(user_id=ALICE_ID, title='Zupa', content={}, user_query='zupa', preferences=[])
        db.session.add(recipe)
        db.session.flush()
        db.session.add(RecipeRating(recipe_id=recipe.id, user_id=ALICE_ID, rating=RecipeRating.UP))
        db.session.add(AIUsage(user_id=ALICE_ID, recipe_id=recipe.id, model='gpt-4o-mini'))
        db.session.add(UserAPIKey(user_id=ALICE_ID, encrypted_api_key='x'))
        db.session.commit()

        assert purge_profiles(30) == 1

        assert db.session.get(Profile, ALICE_ID) is None
        assert Recipe.query.filter_by(user_id=ALICE_ID).count() == 0
        assert RecipeRating.query.count() == 0
        assert AIUsage.query.count() == 0
        assert UserAPIKey.query.count() == 0

    def test_keeps_profiles_within_grace_period(self, db):
        from app.commands import purge_profiles
        from app.models import Profile

        _pending_profile(db, BOB_ID, days_ago=3)
        db.session.add(Profile(user_id=ALICE_ID, preferences=[]))
        db.session.commit()

        assert purge_profiles(30) == 0
        assert Profile.query.count() == 2


class TestCliCommands:

    def test_generate_encryption_key(self, app):
        result = app.test_cli_runner().invoke(args=['generate-encryption-key'])
        assert result.exit_code == 0
        Fernet(result.output.strip().encode())

    def test_purge_command_reports_count(self, app):
        result = app.test_cli_runner().invoke(args=['purge-deleted-profiles', '--days', '7'])
        assert result.exit_code == 0
        assert 'Purged 0 profile(s)' in result.output
