from edgesite.config import SiteConfig, load_site_config
from edgesite.home import SitePaths, ensure_edgesite_layout, resolve_edgesite_home

__version__ = "0.1.0"

__all__ = [
    "SiteConfig",
    "SitePaths",
    "__version__",
    "ensure_edgesite_layout",
    "load_site_config",
    "resolve_edgesite_home",
]
