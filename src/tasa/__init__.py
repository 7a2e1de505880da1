"""Exchange-rate ingestion and serving for the Tasa currency calculator."""
