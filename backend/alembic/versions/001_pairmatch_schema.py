"""pairmatch schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Catalog
    op.create_table(
        'archetypes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('structure_description', sa.String(500), nullable=False),
        sa.Column('component_patterns', sa.String(500), nullable=True),
        sa.Column('api_patterns', sa.String(300), nullable=True),
        sa.Column('min_complexity', sa.Integer(), nullable=False),
        sa.Column('max_complexity', sa.Integer(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            'min_complexity BETWEEN 1 AND 5 AND max_complexity BETWEEN 1 AND 5 '
            'AND min_complexity <= max_complexity',
            name='ck_archetypes_complexity',
        ),
    )
    op.create_index('ix_archetypes_code', 'archetypes', ['code'], unique=True)
    op.create_index('ix_archetypes_active', 'archetypes', ['active'])

    op.create_table(
        'themes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('domain_context', sa.String(500), nullable=True),
        sa.Column('example_entities', sa.String(300), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_themes_code', 'themes', ['code'], unique=True)
    op.create_index('ix_themes_active', 'themes', ['active'])

    # Participants
    op.create_table(
        'participants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('surname', sa.String(100), nullable=True),
        sa.Column('github_url', sa.String(255), nullable=True, unique=True),
        sa.Column('bio', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=False),
        sa.Column('waiting_since', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('FRONTEND', 'BACKEND')", name='ck_participants_role'),
    )
    op.create_index('idx_participants_queue', 'participants', ['role', 'waiting_since', 'id'])

    op.create_table(
        'participant_preferences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('participant_id', sa.Uuid(), nullable=False, unique=True),
        sa.Column('difficulty', sa.Integer(), nullable=True),
        sa.Column('learning_goals', sa.String(500), nullable=True),
        sa.ForeignKeyConstraint(['participant_id'], ['participants.id'], ondelete='CASCADE'),
        sa.CheckConstraint('difficulty BETWEEN 1 AND 5', name='ck_preferences_difficulty'),
    )

    op.create_table(
        'participant_preferred_themes',
        sa.Column('preference_id', sa.Uuid(), primary_key=True),
        sa.Column('theme_id', sa.Uuid(), primary_key=True),
        sa.ForeignKeyConstraint(['preference_id'], ['participant_preferences.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['theme_id'], ['themes.id'], ondelete='CASCADE'),
    )

    # Matches
    op.create_table(
        'matches',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='CREATED'),
        sa.Column('communication_link', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('CREATED', 'ACTIVE', 'COMPLETED')", name='ck_matches_status'),
    )
    op.create_index('ix_matches_status', 'matches', ['status'])

    op.create_table(
        'match_participants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('match_id', sa.Uuid(), nullable=False),
        sa.Column('participant_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['participant_id'], ['participants.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('match_id', 'participant_id', name='uq_match_participant'),
        sa.UniqueConstraint('match_id', 'role', name='uq_match_role'),
        sa.CheckConstraint("role IN ('FRONTEND', 'BACKEND')", name='ck_match_participants_role'),
    )
    op.create_index('idx_match_participants_participant', 'match_participants', ['participant_id'])

    op.create_table(
        'match_completions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('match_id', sa.Uuid(), nullable=False, unique=True),
        sa.Column('completed_by', sa.Uuid(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('repo_url', sa.String(500), nullable=True),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['completed_by'], ['participants.id']),
    )

    # Assignments and reviews
    op.create_table(
        'assignments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('match_id', sa.Uuid(), nullable=False, unique=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('archetype_id', sa.Uuid(), nullable=True),
        sa.Column('theme_id', sa.Uuid(), nullable=True),
        sa.Column('target_complexity', sa.Integer(), nullable=True),
        sa.Column('topic', sa.String(100), nullable=True),
        sa.Column('is_fallback', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['archetype_id'], ['archetypes.id']),
        sa.ForeignKeyConstraint(['theme_id'], ['themes.id']),
    )

    op.create_table(
        'sprint_reviews',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('match_id', sa.Uuid(), nullable=False),
        sa.Column('repo_url', sa.String(500), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('strengths', sa.JSON(), nullable=False),
        sa.Column('missing_elements', sa.JSON(), nullable=False),
        sa.Column('readme_content', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.CheckConstraint('score BETWEEN 0 AND 100', name='ck_sprint_reviews_score'),
    )
    op.create_index('ix_sprint_reviews_match_id', 'sprint_reviews', ['match_id'])


def downgrade() -> None:
    op.drop_index('ix_sprint_reviews_match_id', table_name='sprint_reviews')
    op.drop_table('sprint_reviews')
    op.drop_table('assignments')
    op.drop_table('match_completions')
    op.drop_index('idx_match_participants_participant', table_name='match_participants')
    op.drop_table('match_participants')
    op.drop_index('ix_matches_status', table_name='matches')
    op.drop_table('matches')
    op.drop_table('participant_preferred_themes')
    op.drop_table('participant_preferences')
    op.drop_index('idx_participants_queue', table_name='participants')
    op.drop_table('participants')
    op.drop_index('ix_themes_active', table_name='themes')
    op.drop_index('ix_themes_code', table_name='themes')
    op.drop_table('themes')
    op.drop_index('ix_archetypes_active', table_name='archetypes')
    op.drop_index('ix_archetypes_code', table_name='archetypes')
    op.drop_table('archetypes')
