"""Built-in compiler backends, discovered by ``svconform.adapters.registry``."""
