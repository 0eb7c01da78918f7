"""Storage backends implementing the GovernanceStore ports."""
