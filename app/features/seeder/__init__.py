"""Seeder feature module exposing unified scenario seeding over REST."""

from app.features.seeder.routes import router

__all__ = ["router"]
