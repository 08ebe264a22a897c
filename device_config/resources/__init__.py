"""Default string and drawable resources for the boot notification."""
