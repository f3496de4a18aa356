"""departement and ville tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 10:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'departement',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=3), nullable=False),
        sa.Column('nom', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_departement_id'), 'departement', ['id'], unique=False)
    op.create_index(op.f('ix_departement_code'), 'departement', ['code'], unique=True)

    op.create_table(
        'ville',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nom', sa.String(length=100), nullable=False),
        sa.Column('nb_habs', sa.Integer(), nullable=False),
        sa.Column('id_dept', sa.Integer(), nullable=False),
        sa.CheckConstraint('nb_habs >= 1 AND nb_habs <= 50000000', name='ck_ville_nb_habs_range'),
        sa.ForeignKeyConstraint(['id_dept'], ['departement.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_ville_id'), 'ville', ['id'], unique=False)
    op.create_index(op.f('ix_ville_nom'), 'ville', ['nom'], unique=True)
    op.create_index(op.f('ix_ville_id_dept'), 'ville', ['id_dept'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_ville_id_dept'), table_name='ville')
    op.drop_index(op.f('ix_ville_nom'), table_name='ville')
    op.drop_index(op.f('ix_ville_id'), table_name='ville')
    op.drop_table('ville')
    op.drop_index(op.f('ix_departement_code'), table_name='departement')
    op.drop_index(op.f('ix_departement_id'), table_name='departement')
    op.drop_table('departement')
