"""FinScope background refresh jobs."""
