"""Module __init__: interception hook for live traffic."""
#
# PURPOSE:
# Sits between the client and the Zota API and signs requests on the fly:
# Client <-> mitmproxy (ZotaAddon) <-> api.zotapay*.com
#
# KEY MODULES:
# - addon.py: mitmproxy addon, flow <-> HttpRequest conversion, zota.* commands
# - proxy.py: background DumpMaster runner
#
