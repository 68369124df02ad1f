"""site_mapper.parser: readers for documents the crawler emits."""
