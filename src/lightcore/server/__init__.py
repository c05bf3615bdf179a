"""Server boundary — transports, return-value negotiation and error rendering."""
