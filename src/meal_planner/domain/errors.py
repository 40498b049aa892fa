"""Errors raised by meal planning."""


class MealPlannerError(Exception):
    """Base error for meal planning failures."""


class ProfileValidationError(MealPlannerError):
    """The user profile or active goal is missing or unusable."""


class UpstreamUnavailableError(MealPlannerError):
    """The embedding provider or the vector search failed."""


class PlanAlreadyExistsError(MealPlannerError):
    """A plan already exists for the user and date."""


class TransactionFailedError(MealPlannerError, RuntimeError):
    """A write to the relational store failed and was rolled back."""


class FoodAlreadyPlannedError(MealPlannerError):
    """The food is already planned for that meal slot."""
