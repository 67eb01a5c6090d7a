"""End-to-end test suites run against the MedicineTrack services."""
