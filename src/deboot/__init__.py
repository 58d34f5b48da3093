"""MQTT bridge for Ecovacs Deebot vacuums."""
