"""Identity reconciliation and account provisioning for federated logins."""
