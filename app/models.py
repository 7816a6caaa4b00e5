import uuid

from flask_login import UserMixin

from app import db
from app.lib.llm_utils import mask_api_key
from app.lib.time import utcnow_naive, isoformat


class AuthUser(UserMixin):
    """
    Authenticated caller resolved from a bearer token.

    Accounts live in the hosted auth service; only the id and email are
    carried through a request.
    """

    def __init__(self, id, email=None):
        self.id = id
        self.email = email

    def to_dict(self):
        return {'id': self.id, 'email': self.email}

    def __repr__(self):
        return f'<AuthUser {self.id}>'


class Profile(db.Model):
    """
    Per-user application profile holding culinary preferences.
    """
    __tablename__ = 'profiles'

    STATUS_ACTIVE = 'active'
    STATUS_PENDING_DELETION = 'pending_deletion'

    user_id = db.Column(db.String(36), primary_key=True)
    preferences = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(32), nullable=False, default=STATUS_ACTIVE)
    status_changed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'preferences': list(self.preferences or []),
            'status': self.status,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Profile {self.user_id}>'


class UserAPIKey(db.Model):
    """
    User-provided AI provider key, one per user. Stored Fernet encrypted.
    """
    __tablename__ = 'user_api_keys'
    __table_args__ = (
        db.UniqueConstraint('user_id', name='uq_user_api_keys_user'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    provider = db.Column(db.String(50), nullable=False, default='openai')
    encrypted_api_key = db.Column(db.Text, nullable=False)
    key_last4 = db.Column(db.String(4))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_validated = db.Column(db.DateTime)
    last_used_at = db.Column(db.DateTime)
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    def to_dict(self):
        # Never exposes the key itself
        return {
            'id': self.id,
            'provider': self.provider,
            'masked_key': mask_api_key(last4=self.key_last4),
            'is_active': self.is_active,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
            'last_used_at': isoformat(self.last_used_at),
            'usage_count': self.usage_count or 0,
        }

    def mark_used(self):
        self.usage_count = (self.usage_count or 0) + 1
        self.last_used_at = utcnow_naive()


class Recipe(db.Model):
    __tablename__ = 'recipes'
    __table_args__ = (
        db.Index('idx_recipes_user_created', 'user_id', 'created_at'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.JSON, nullable=False)  # ingredients, shopping_list, instructions
    user_query = db.Column('query', db.Text, nullable=False)
    preferences = db.Column(db.JSON, nullable=False, default=list)
    is_visible = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    ratings = db.relationship('RecipeRating', backref='recipe', lazy='dynamic',
                              cascade='all, delete-orphan')

    def to_list_item(self):
        return {
            'id': self.id,
            'title': self.title,
            'created_at': isoformat(self.created_at),
            'is_visible': self.is_visible,
        }

    def to_dict(self, user_rating=None):
        content = self.content or {}
        return {
            'id': self.id,
            'title': self.title,
            'ingredients': content.get('ingredients', []),
            'shopping_list': content.get('shopping_list', []),
            'instructions': content.get('instructions', []),
            'query': self.user_query,
            'preferences': list(self.preferences or []),
            'is_visible': self.is_visible,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
            'user_rating': user_rating,
        }


class RecipeRating(db.Model):
    __tablename__ = 'recipe_ratings'
    __table_args__ = (
        db.UniqueConstraint('recipe_id', 'user_id', name='uq_recipe_rating_user'),
        db.CheckConstraint('rating IN (-1, 1)', name='ck_recipe_rating_value'),
    )

    UP = 1
    DOWN = -1

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.String(36), db.ForeignKey('recipes.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.String(36), nullable=False)
    rating = db.Column(db.SmallInteger, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    @property
    def label(self):
        return 'up' if self.rating == self.UP else 'down'

    def to_dict(self):
        return {
            'recipe_id': self.recipe_id,
            'rating': self.label,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class AIUsage(db.Model):
    """
    One row per AI generation, used for limits and cost reporting.
    """
    __tablename__ = 'ai_usage'
    __table_args__ = (
        db.Index('idx_ai_usage_user_created', 'user_id', 'created_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False)
    recipe_id = db.Column(db.String(36), db.ForeignKey('recipes.id', ondelete='SET NULL'))
    model = db.Column(db.String(50), nullable=False)
    input_tokens = db.Column(db.Integer, nullable=False, default=0)
    output_tokens = db.Column(db.Integer, nullable=False, default=0)
    cost = db.Column(db.Float, nullable=False, default=0.0)
    used_own_key = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow_naive)
