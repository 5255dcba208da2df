# Services package.
#
#   provisioning_service — creates a user in the database and the identity
#                          provider as one unit of work, with compensation
#   record_splitter      — splits a registration payload into user / artist
#   error_translator     — maps store / provider failures to ProvisioningError
#   saga                 — ordered compensation log used by provisioning
#   user_service         — read-only queries for User
#
# Read functions accept an AsyncSession as their first argument so that the
# router layer controls the session via the ``get_db`` dependency.  The
# provisioning flow owns its own transaction through ``RelationalStore``.
