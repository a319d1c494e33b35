import logging
import os
from pathlib import Path
from sys import argv

logger = logging.getLogger(__name__)

project_directory = Path(os.path.abspath(__file__)).parent

working_directory = Path(os.getcwd())

working_directory_parent = working_directory.parent


def find_default(name: str, look_in_package=True) -> Path:
    """
    Get a default path when no command line argument is passed.

    - First attempt to find the folder inside the selfisolation package.
    - If it is not found there then try the current working directory.
    - Finally, try the directory above the current working directory.

    This means that tests will find the configuration regardless of whether
    they are run together or individually.

    Parameters
    ----------
    name
        The name of some folder

    Returns
    -------
    The full path to that directory
    """
    directories_to_look = []
    if look_in_package:
        directories_to_look.append(project_directory)
    directories_to_look += [working_directory, working_directory_parent]
    for directory in directories_to_look:
        path = directory / name
        if os.path.exists(path):
            return path
    raise FileNotFoundError(f"Could not find a default path for {name}")


def path_for_name(name: str, look_in_package=True) -> Path:
    """
    Get a path input using a flag when the program is run.

    If no such argument is given default to the folder shipped with the
    package.

    e.g. --configs indicates where the configs folder is and defaults
    to selfisolation/configs

    Parameters
    ----------
    name
        A string such as "configs" which corresponds to the flag --configs

    Returns
    -------
    A path
    """
    flag = f"--{name}"
    try:
        path = Path(argv[argv.index(flag) + 1])
        if not path.exists():
            raise FileNotFoundError(f"No such folder {path}")
    except (IndexError, ValueError):
        path = find_default(name, look_in_package=look_in_package)
        logger.debug(f"No {flag} argument given - defaulting to: {path}")

    return path


configs_path = path_for_name("configs")
