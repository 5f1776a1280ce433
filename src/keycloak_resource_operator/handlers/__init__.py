"""
Handlers package - Contains the Kopf event handlers of the operator.

- child.py: realm child resources (groups, client scopes, auth flows and
  components), one handler set per kind
"""
