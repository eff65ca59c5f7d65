"""Container image export, transfer, import and verification."""
