"""Integrations with the user directory, outbound mail and profile proofs."""
