"""Remote execution primitives: SSH transport and privilege escalation."""
