"""Production infrastructure: terraform-driven reconcilers for Google Cloud and AWS."""
