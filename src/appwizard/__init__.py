"""
appwizard - scaffold, run and deploy the app template.

Resolves Docker Compose start-up order and reconciles the production
infrastructure (storage, database, compute) on Google Cloud or AWS.
"""

__version__ = "0.1.0"
