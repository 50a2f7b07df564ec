"""Module __init__: foundational pieces shared by the rest of zotasigner."""
#
# PURPOSE:
# Marks the "base" directory as a Python package containing the components
# everything else is built on.
#
# WHAT'S IN THIS MODULE:
# - config.py: Application configuration (signing flags, storage paths, proxy, logging)
# - exceptions.py: Error taxonomy for profile, API base and persistence failures
#
