"""Third-party provider clients: HubSpot, SendGrid, Slack and the forums source."""
