"""Boston open-data datastore tools: paginated retrieval, address reconciliation and ranked summaries."""
