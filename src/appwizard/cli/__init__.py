"""Command line interface for appwizard."""
