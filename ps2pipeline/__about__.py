"""Metadata for ps2pipeline."""

__all__ = [
    "__title__",
    "__version__",
    "__description__",
    "__readme__",
    "__credits__",
    "__keywords__",
    "__license__",
    "__requires_python__",
    "__status__",
]

__title__ = "ps2pipeline"
__version__ = "0.3.0"
__description__ = "Convert parameterized PowerShell scripts into Azure DevOps and GitHub Actions steps"
__readme__ = "README.md"
__credits__ = [{"name": "Matthew Martin", "email": "matthewdeanmartin@gmail.com"}]
__keywords__ = ["powershell", "azure-devops", "github-actions", "pipeline"]
__license__ = "MIT"
__requires_python__ = ">=3.9"
__status__ = "4 - Beta"
