"""
Runner Agent Core: node lifecycle and control-plane transport for a CI runner agent.

Drives an external node-provisioning tool (docker-machine) to create, check and
remove ephemeral build hosts, and talks JSON over HTTPS to the coordinating
server with CA material that is reloaded when it changes on disk.
"""
