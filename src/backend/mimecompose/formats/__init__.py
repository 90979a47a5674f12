"""Wire formats: RFC 5322 messages and MIME bodies."""
