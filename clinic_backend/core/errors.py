"""Errors raised by the scheduling core.

A slot that is no longer free is not an error: the validator reports it as a
``SlotCheck`` conflict. Only bad configuration and bad input raise.
"""


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class ConfigurationError(SchedulingError):
    """Opening hours, blocks, pricing or buffer settings are malformed."""


class InputError(SchedulingError):
    """The caller passed a value the core refuses to compute with."""


class WeekendUnavailableError(InputError):
    """A weekend price was requested for a service that has none."""

    def __init__(self, service_id: str):
        super().__init__(f"Service '{service_id}' is not available on weekends.")
        self.service_id = service_id
