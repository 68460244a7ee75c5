"""
Active Directory attribute names and constants used by the query layer.

Attribute names are lower-cased because raw entries are keyed that way.
"""

# Attributes
ANR = 'anr'
COMMON_NAME = 'cn'
DESCRIPTION = 'description'
DISPLAY_NAME = 'displayname'
DISTINGUISHED_NAME = 'distinguishedname'
DNS_HOST_NAME = 'dnshostname'
EMAIL = 'mail'
GROUP_TYPE = 'grouptype'
LOCATION = 'location'
MEMBER = 'member'
MEMBER_OF = 'memberof'
OBJECT_CATEGORY = 'objectcategory'
OBJECT_CLASS = 'objectclass'
OBJECT_SID = 'objectsid'
OPERATING_SYSTEM = 'operatingsystem'
PORT_NAME = 'portname'
PRINTER_NAME = 'printername'
SAM_ACCOUNT_NAME = 'samaccountname'
SAM_ACCOUNT_TYPE = 'samaccounttype'
SERIAL_NUMBER = 'serialnumber'
USER_PRINCIPAL_NAME = 'userprincipalname'

# Root DSE
DEFAULT_NAMING_CONTEXT = 'defaultnamingcontext'

# Object category values (first RDN of objectCategory, lower-cased)
OBJECT_CATEGORY_COMPUTER = 'computer'
OBJECT_CATEGORY_PERSON = 'person'
OBJECT_CATEGORY_GROUP = 'group'
OBJECT_CATEGORY_CONTAINER = 'container'
OBJECT_CATEGORY_PRINTER = 'print-queue'
OBJECT_CATEGORY_EXCHANGE_SERVER = 'ms-exch-exchange-server'

# Object class values
OBJECT_CLASS_GROUP = 'group'
OBJECT_CLASS_PERSON = 'person'
OBJECT_CLASS_USER = 'user'

# sAMAccountType values for groups
SECURITY_GLOBAL_GROUP = 268435456
DISTRIBUTION_GROUP = 268435457

# Filter used when a query carries no predicates
ALL_OBJECTS_FILTER = '(objectClass=*)'

# Simple paged results control
PAGED_RESULTS_OID = '1.2.840.113556.1.4.319'

# Attributes holding binary values, never decoded to text
BINARY_ATTRIBUTES = frozenset({
    OBJECT_SID,
    'objectguid',
    'thumbnailphoto',
    'jpegphoto',
    'usercertificate',
    'sidhistory',
    'tokengroups',
    'ntsecuritydescriptor',
    'msexchmailboxguid',
    'ms-ds-consistencyguid',
    'logonhours',
})
