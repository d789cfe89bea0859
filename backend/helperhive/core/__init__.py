"""Configuration, enums, constants, exceptions and shared infrastructure."""
