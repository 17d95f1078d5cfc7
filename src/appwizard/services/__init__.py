"""Local container operations driven by the compose files."""
