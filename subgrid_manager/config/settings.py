"""
Configuration settings for the Subgrid Manager.

This module defines all configuration constants and parameters for the system,
organized into the following sections:

Dataverse Connection:
- Organization URL and bearer token
- Web API version and request timeouts

Paging and Layout:
- Default and maximum page sizes
- Minimum column width for grid layout

Wire Conventions:
- Annotation suffixes the Web API appends to record keys
- Literal values recognized in FetchXml

Environment-specific values are read from a .env file at the project root
(if present) and then from the process environment.
"""
import os
from dotenv import load_dotenv
from pathlib import Path

# Find the project root directory (where .env is located)
project_root = Path(__file__).parent.parent.parent
dotenv_path = project_root / '.env'

# Try to load from .env file
load_dotenv(dotenv_path=dotenv_path)

#-----------------------------------------------------------------------------
# Dataverse Connection
#-----------------------------------------------------------------------------

DATAVERSE_URL = os.getenv('DATAVERSE_URL', '')  # e.g. https://contoso.crm.dynamics.com
DATAVERSE_TOKEN = os.getenv('DATAVERSE_TOKEN', '')  # OAuth bearer token
DATAVERSE_API_VERSION = os.getenv('DATAVERSE_API_VERSION', '9.2')
REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '30'))  # seconds

#-----------------------------------------------------------------------------
# Paging and Layout
#-----------------------------------------------------------------------------

DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '25'))
MAX_PAGE_SIZE = 250  # Upper bound accepted from configuration input
MIN_PAGE_SIZE = 1
MIN_COLUMN_WIDTH = 100  # pixels
DEFAULT_ALLOCATED_WIDTH = 1200  # pixels, used when no width is supplied

#-----------------------------------------------------------------------------
# Wire Conventions
#-----------------------------------------------------------------------------

# Annotation suffixes, appended to record keys as "{key}@{suffix}"
FORMATTED_VALUE_SUFFIX = 'OData.Community.Display.V1.FormattedValue'
LOOKUP_LOGICAL_NAME_SUFFIX = 'Microsoft.Dynamics.CRM.lookuplogicalname'

# Prefer header asking the Web API to return all annotations
INCLUDE_ANNOTATIONS_HEADER = 'odata.include-annotations="*"'

# FetchXml literals
AGGREGATE_TRUE = 'true'
COUNT_ALIAS = 'recordcount'

# Recognized keys of the JSON configuration input
CONFIG_INPUT_KEYS = (
    'fetchXml',
    'pageSize',
    'newButtonVisibility',
    'deleteButtonVisibility',
)
