"""HTTP API: cron-triggered ingestion endpoints and the rates read/write endpoint."""
