"""
Theurgy - Command implementations for the Tessera CLI.

Each module corresponds to one or more top-level CLI commands:
- connect: connect / whoami against the signing agent
- invoke:  execute an arbitrary contract call
- ticket:  create-event, purchase, transfer
- status:  re-query a submitted transaction
- keygen:  key for the local development agent
"""
