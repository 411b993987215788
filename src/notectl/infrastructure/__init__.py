"""Infrastructure layer: database, repository transactions, templates.

This layer depends on stdlib and third-party libs (SQLAlchemy, Jinja2).
The service layer bridges between domain models and infrastructure.
"""
