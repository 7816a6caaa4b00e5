from datetime import timedelta

import click
from cryptography.fernet import Fernet
from flask.cli import with_appcontext

from app import db
from app.lib.time import utcnow_naive
from app.models import AIUsage, Profile, Recipe, RecipeRating, UserAPIKey


@click.command('generate-encryption-key')
def generate_encryption_key():
    """Print a new Fernet key for ENCRYPTION_KEY."""
    click.echo(Fernet.generate_key().decode())


def purge_profiles(days: int) -> int:
    """
    Remove profiles pending deletion for more than `days` together with the
    user's keys, recipes, ratings and usage rows. Returns the profile count.
    """
    cutoff = utcnow_naive() - timedelta(days=days)
    profiles = Profile.query.filter(
        Profile.status == Profile.STATUS_PENDING_DELETION,
        Profile.status_changed_at <= cutoff,
    ).all()

    for profile in profiles:
        user_id = profile.user_id
        RecipeRating.query.filter_by(user_id=user_id).delete()
        AIUsage.query.filter_by(user_id=user_id).delete()
        for recipe in Recipe.query.filter_by(user_id=user_id).all():
            db.session.delete(recipe)
        UserAPIKey.query.filter_by(user_id=user_id).delete()
        db.session.delete(profile)

    db.session.commit()
    return len(profiles)


@click.command('purge-deleted-profiles')
@click.option('--days', default=30, show_default=True, help='Grace period after the deletion request.')
@with_appcontext
def purge_deleted_profiles(days):
    """Delete profiles whose deletion grace period has passed."""
    try:
        removed = purge_profiles(days)
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error purging profiles: {e}")
        raise click.Abort() from e
    click.echo(f"Purged {removed} profile(s) pending deletion for more than {days} days")


def init_commands(app):
    app.cli.add_command(generate_encryption_key)
    app.cli.add_command(purge_deleted_profiles)
