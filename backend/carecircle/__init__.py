"""Care circle backend: family access codes, memberships and alert lifecycle."""
