"""Music Connect: community activity proposals for music students."""
