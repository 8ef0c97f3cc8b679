"""
Environment inspection web service.

Serves a welcome page and a JSON view of the process environment so that
what Kubernetes injects into a pod can be checked from a browser.
"""
