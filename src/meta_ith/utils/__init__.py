"""
Utils package initialization
"""

from .shared_functions import (
    CONFIG,
    get_config,
    setup_logging,
    load_table,
    read_list_file,
    save_results,
    save_plot
)
from .batch import BatchFailure, BatchResult, run_batch
