from embedify.pipeline import main

main()
