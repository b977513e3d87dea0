"""
Klick Market moderation package

Modules:
- config: settings loaded from the environment
- models: product listing and moderation result types
- moderation: keyword policy, remote providers, orchestrator, AI state mapping
- workflow: product lifecycle state machine and notification events
- db: product repositories (in-memory and SQLAlchemy)
- api: FastAPI surface for sellers and admins
- tasks: Celery background validation
"""

__version__ = "0.1.0"
