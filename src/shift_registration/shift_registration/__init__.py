"""Shift Registration package.

Weekly shift self-registration with quota validation, an admin approval
workflow and override paths. Organized by feature modules (registrations,
settings, shifts, users, ...) with a thin Flask controller layer over
service/repository layers.
"""
