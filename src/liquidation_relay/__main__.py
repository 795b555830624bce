from liquidation_relay.app import main

main()
