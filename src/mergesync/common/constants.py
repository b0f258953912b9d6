# Source column tagging each ingest batch
PROCESSING_DTTM_COLUMN = "processing_dttm"

# Namespace used while describing tables. Hive parses "desc a.b" as
# table.column inside some databases (HIVE-12184), never inside default.
DEFAULT_DATABASE = "default"

# Metadata markers
LOCATION_MARKER = "location:"
PARTITION_INFO_MARKER = "#"

# Alias of the row count column in the distinct partition query
PARTITION_COUNT_ALIAS = "tb_cnt"

# Hive Configuration Keys
HIVE_CONF_DYNAMIC_PARTITION = "hive.exec.dynamic.partition"
HIVE_CONF_DYNAMIC_PARTITION_MODE = "hive.exec.dynamic.partition.mode"

# Table property flipped before dropping a table so its data goes with it
TBLPROPERTY_EXTERNAL = "EXTERNAL"

# Hive types rendered as unquoted literals
NUMERIC_TYPES = frozenset(
    {"tinyint", "smallint", "int", "integer", "bigint", "float", "double", "decimal"}
)

# Validation patterns
FEED_VALUE_PATTERN = r"^[A-Za-z0-9_:.\- ]+$"
IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"
NUMERIC_LITERAL_PATTERN = r"^-?[0-9]+(\.[0-9]+)?([eE][-+]?[0-9]+)?$"

# Staging tables are named <table>_<epoch millis>
STAGING_SUFFIX_PATTERN = r"_[0-9]{13}$"
