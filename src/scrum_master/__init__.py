"""Semi-autonomous scrum master: GitHub project automation."""

__version__ = "1.0.0"
