"""
Exposure analyzers: pure functions of collected chain data.

Each analyzer owns its output type (to_dict/from_dict with camelCase keys) and
never touches the network; prices and address tables are passed in.
"""
