"""Personal trade journal web application."""

from journal_app.app import create_app

__all__ = ['create_app']
