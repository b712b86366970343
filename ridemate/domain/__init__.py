"""Pure booking rules: capacity ledger, refund schedule, pickup codes."""
