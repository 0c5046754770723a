"""Link discovery: scanning, normalization, fetching and orchestration."""
