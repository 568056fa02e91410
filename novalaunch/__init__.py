"""Launch a single OpenStack server and wait until it accepts SSH."""
