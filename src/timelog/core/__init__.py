from .aggregator import aggregate_work_item, iter_deltas, merge_totals
from .config import Config, load_config
from .locator import locate_work_items
from .plugin import Plugin, QueryPlugin, RevisionPlugin
from .report import build_report, collect_work_items, process_work_item
