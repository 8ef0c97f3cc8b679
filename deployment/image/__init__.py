"""Container image contract checks and builds."""
