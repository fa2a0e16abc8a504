from app.utils.helpers import format_authors, get_field, parse_year, record_year

__all__ = ["format_authors", "get_field", "parse_year", "record_year"]
