from .fuzzer import main

main()
