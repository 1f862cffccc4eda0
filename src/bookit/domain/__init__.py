"""Domain layer for bookit application."""

# Services import the database layer, which imports entities from this
# package, so they are resolved lazily.
_SERVICES = {
    "AccountService": "bookit.domain.directory",
    "ContactService": "bookit.domain.directory",
    "SavingsPlanService": "bookit.domain.directory",
    "SecurityService": "bookit.domain.directory",
    "DraftService": "bookit.domain.draft",
    "EntryClassifier": "bookit.domain.classifier",
    "SplitLinker": "bookit.domain.split",
    "Validator": "bookit.domain.validation",
    "BookingEngine": "bookit.domain.booking",
    "PostingAggregationService": "bookit.domain.aggregation",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
