"""支持 python -m pkgbatch"""

from pkgbatch.cli import main

main()
