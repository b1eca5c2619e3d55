"""Configuration, persistence, security and error primitives shared by the app."""
