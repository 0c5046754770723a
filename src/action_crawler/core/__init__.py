"""Configuration and result types shared by the crawler."""
