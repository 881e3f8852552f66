"""Clinic application for the medbook backend.

This package contains the models, lifecycle services, serializers,
views and route registrations behind the hospital booking, bed and
pharmacy API.
"""
