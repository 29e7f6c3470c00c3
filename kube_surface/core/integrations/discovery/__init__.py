from .path_introspection import PathIntrospectionFetcher
from .tabular import TabularCommandFetcher

__all__ = ["PathIntrospectionFetcher", "TabularCommandFetcher"]
