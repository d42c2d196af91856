"""Link services."""
