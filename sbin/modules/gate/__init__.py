from .versions import Version, parse_version, parse_version_token
from .probe import probe_installed_version, probe_candidate_version, is_executable
from .decision import InstallDecision, decide_install, needs_confirmation, ask_yes_no
