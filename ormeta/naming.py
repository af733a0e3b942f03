# ==============================================
# UnderscoreNamingStrategy
# ==============================================
#
# PURPOSE:
#   Derive default table, column and class names when a mapping
#   description leaves them out.
#
#   Entity  → table         (BlogPost  → blog_post)
#   Field   → column        (createdAt → created_at)
#   Table   → entity name   (blog_post → BlogPost)
#   Column  → field name    (created_at → createdAt)
#   Association → join column  (author → author_id)
#
# RULES (snake_case direction):
# -----------------------------
#   1. camelCase    → snake_case    (userName → user_name)
#   2. PascalCase   → snake_case    (UserName → user_name)
#   3. ALLCAPS      → lowercase     (IP → ip)
#   4. Mixed abbrev → snake_case    (XMLParser → xml_parser)
#   5. Already snake → unchanged
#   6. Special characters become underscores, runs collapse
#
# ==============================================

import re
from typing import Dict


class UnderscoreNamingStrategy:
    """
    Converts between entity/field names and table/column names.
    Results are memoized per input name.
    """

    def __init__(self, referenced_column_name: str = "id"):
        self.referenced_column_name = referenced_column_name
        self._snake: Dict[str, str] = {}

    def class_to_table_name(self, class_name: str) -> str:
        # Strip a module path ("app.models.BlogPost" / "app.models:BlogPost")
        short_name = re.split(r"[.:\\]", class_name)[-1]
        return self.to_snake_case(short_name)

    def property_to_column_name(self, property_name: str) -> str:
        return self.to_snake_case(property_name)

    def join_column_name(self, property_name: str) -> str:
        return f"{self.to_snake_case(property_name)}_{self.referenced_column_name}"

    def table_to_class_name(self, table_name: str) -> str:
        return "".join(part.capitalize() for part in self.to_snake_case(table_name).split("_") if part)

    def column_to_property_name(self, column_name: str) -> str:
        head, *rest = self.to_snake_case(column_name).split("_")
        return head + "".join(part.capitalize() for part in rest if part)

    def to_snake_case(self, name: str) -> str:
        if not name:
            return name
        if name in self._snake:
            return self._snake[name]

        converted = self._camel_to_snake(name)
        self._snake[name] = converted
        return converted

    def _camel_to_snake(self, name: str) -> str:
        # Remove any non-alphanumeric characters except underscores
        name = re.sub(r'[^a-zA-Z0-9_]', '_', name)

        # "XMLParser" -> "XML_Parser"
        name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)

        # "userName" -> "user_Name"
        name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)

        name = name.lower()
        name = re.sub(r'_+', '_', name)
        return name.strip('_')
