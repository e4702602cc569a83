"""Direct agent, exec gateway and identity-issuance adapters."""
