"""Core package of sup: config handling and the error hierarchy."""
