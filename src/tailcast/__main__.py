from tailcast.cli import main

main()
