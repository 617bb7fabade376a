from enum import Enum


class Environment(str, Enum):
    """Application environment types."""

    PRODUCTION = "production"
    TESTING = "testing"
    DEVELOPMENT = "development"

    @classmethod
    def is_testing(cls, env: str) -> bool:
        """Check if environment is testing."""
        return env.lower() == cls.TESTING.value

    @classmethod
    def runs_background_jobs(cls, env: str) -> bool:
        """Recurring jobs are disabled under test so unit tests stay deterministic."""
        return not cls.is_testing(env)
