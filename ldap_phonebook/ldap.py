# Directory code reaches python-ldap through this module instead of importing
# ``ldap`` directly, so that python-ldap-faker can replace ``initialize`` here
# in the tests while constants and exceptions stay the real ones.
import ldap
from ldap import *  # noqa: F403

__version__ = ldap.__version__
