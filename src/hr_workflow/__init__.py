"""HR workflow engine: onboarding, leave and ticket lifecycles."""

__version__ = "0.1.0"
