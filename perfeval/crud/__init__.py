"""
CRUD operations (Create, Read, Update, Delete) for database models.

This layer provides a clean separation between API routes and database operations,
following the Repository pattern. Every function takes the session and the
tenant's business_id explicitly.
"""

from perfeval.crud import assignment, bonus_allocation, business, department, evaluation, template, user

__all__ = ["assignment", "bonus_allocation", "business", "department", "evaluation", "template", "user"]
