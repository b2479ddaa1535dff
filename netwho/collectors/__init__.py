from .ssh import SshRunner, bounded_map
from .remote import fetch_summaries, get_all_process_info, get_process_info_for_target
