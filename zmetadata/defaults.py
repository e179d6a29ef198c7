import os

# consolidated envelope
consolidated_format = 1
metadata_key = os.environ.get('ZMETADATA_KEY', '.zmetadata')

# walker
max_depth = int(os.environ.get('ZMETADATA_MAX_DEPTH', '256'))
if_unlistable = os.environ.get('ZMETADATA_IF_UNLISTABLE', 'skip').lower()
