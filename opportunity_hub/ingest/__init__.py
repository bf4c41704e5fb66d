"""Source fetchers, reconciliation and the sync pipeline."""
