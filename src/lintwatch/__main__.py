from lintwatch.cli import main

main()
