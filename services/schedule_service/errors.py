"""Template authoring failures."""

from libs.common.errors import StateConflict, ValidationFailed


class EmptySchedule(ValidationFailed):
    code = "empty_schedule"
    default_message = "The schedule does not produce any class dates"


class HasDependents(StateConflict):
    code = "has_dependents"
    default_message = (
        "This schedule has members registered or who have attended classes. "
        "Cancel all registrations first."
    )
