from uxcheck.cli import main

main()
