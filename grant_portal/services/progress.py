from grant_portal.models.domain import GrantApplication

SECTION_FLAGS = (
    "agricultural_return_completed",
    "land_declaration_completed",
    "consent_form_completed",
    "supporting_docs_completed",
)


def calculate_progress(application: GrantApplication) -> int:
    completed = sum(1 for flag in SECTION_FLAGS if getattr(application, flag))
    return round(completed / len(SECTION_FLAGS) * 100)


def is_complete(application: GrantApplication) -> bool:
    return all(getattr(application, flag) for flag in SECTION_FLAGS)


def refresh_progress(application: GrantApplication) -> None:
    """Recalculate progress after a section flag changed."""
    application.progress_percentage = calculate_progress(application)
