"""OCI registry storage layer."""
