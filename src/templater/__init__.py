"""templater - capture directories as reusable project templates."""

__version__ = "0.3.0"
