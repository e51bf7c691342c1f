"""
The CONTROLLER layer keeps text, validation and preview in sync.
It validates on the main thread and renders through mermaid-cli in workers.
"""
