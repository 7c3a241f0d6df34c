"""Submission intake -- normalize, merge and enrich HubSpot form submissions."""
