"""
DAQ Sentry — monitoring and run cataloging for a data-acquisition workstation.
"""

__version__ = "0.1.0"
