from .auth import RegistryAuth, get_auth_token, pull_scope
