"""Balance aggregation across financial institutions.

Drives one automated browser session per configured relationship, resolves
credentials from a secret store on demand, and writes the collected balances
to a data store.
"""

__version__ = "0.1.0"
