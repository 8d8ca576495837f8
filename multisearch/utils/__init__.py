"""
Utility package setup.

Enables pandas Copy-on-Write globally so that sub-sampled and incomplete-row
filtered datasets do not duplicate the underlying frames unnecessarily.
"""

import pandas as pd

# Reduce implicit copies across the search.
pd.options.mode.copy_on_write = True
