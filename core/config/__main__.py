"""python -m core.config encrypt <明文key>"""

from . import main_encrypt

main_encrypt()
